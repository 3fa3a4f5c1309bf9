"""Advertise address resolution.

The node's advertise address comes either from an explicit
``IP_ADDRESS=a.b.c.d`` argument or from the first non-loopback IPv4 address
configured on the host.
"""

import ipaddress
import logging
import re
from typing import List, Optional, Sequence

from ...errors import InvalidArgument, NoAddressFound
from .runner import CommandRunner

logger = logging.getLogger("kubeprep.resolver")

IP_ARGUMENT_RE = re.compile(r'^IP_ADDRESS=((?:[0-9]{1,3}\.){3}[0-9]{1,3})$')
INET_RE = re.compile(r'\binet\s+(\d{1,3}(?:\.\d{1,3}){3})(?:/\d+)?')


def parse_ip_argument(argument: str) -> str:
    """Extract the address from an ``IP_ADDRESS=a.b.c.d`` argument.

    Octets are range-checked: ``IP_ADDRESS=999.1.1.1`` is rejected even though
    it has the right digit counts.
    """
    match = IP_ARGUMENT_RE.fullmatch(argument)
    if not match:
        raise InvalidArgument(
            f"Invalid argument format '{argument}'. Expected format is IP_ADDRESS=x.x.x.x"
        )
    address = match.group(1)
    if any(int(octet) > 255 for octet in address.split('.')):
        raise InvalidArgument(f"Invalid IPv4 address '{address}': octets must be in 0-255")
    return address


def parse_interface_addresses(output: str) -> List[str]:
    """Return IPv4 addresses from ``ip -4 -o addr show`` output, in order."""
    return INET_RE.findall(output or '')


def first_non_loopback(addresses: Sequence[str]) -> Optional[str]:
    for address in addresses:
        try:
            if ipaddress.IPv4Address(address).is_loopback:
                continue
        except ipaddress.AddressValueError:
            continue
        return address
    return None


def detect_address(runner: CommandRunner) -> str:
    """Find the first non-loopback IPv4 address on the host."""
    output = runner.output(['ip', '-4', '-o', 'addr', 'show'])
    address = first_non_loopback(parse_interface_addresses(output))
    if not address:
        raise NoAddressFound("Could not find a valid IP address for a non-loopback interface")
    return address


def resolve_advertise_address(args: Optional[Sequence[str]], runner: CommandRunner) -> str:
    """Resolve the advertise address from zero or one CLI argument.

    Args:
        args: Positional CLI arguments
        runner: Command runner used to inspect interfaces

    Returns:
        str: The IPv4 address to advertise

    Raises:
        InvalidArgument: If more than one argument is given or its shape is wrong
        NoAddressFound: If no argument is given and no usable interface exists
    """
    args = list(args or [])
    if len(args) > 1:
        raise InvalidArgument(f"Invalid number of arguments: expected at most 1, got {len(args)}")

    if args:
        address = parse_ip_argument(args[0])
        logger.info(f"Using specified IP address: {address}")
        return address

    address = detect_address(runner)
    logger.info(f"Detected IP address: {address}")
    return address
