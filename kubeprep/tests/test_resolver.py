import pytest

from conftest import IP_ADDR_OUTPUT, FakeRunner
from kubeprep.errors import InvalidArgument, NoAddressFound
from kubeprep.modules.kubeadm.resolver import (
    first_non_loopback,
    parse_interface_addresses,
    parse_ip_argument,
    resolve_advertise_address,
)


def test_explicit_address_is_used_verbatim():
    runner = FakeRunner()
    assert resolve_advertise_address(["IP_ADDRESS=192.168.1.10"], runner) == "192.168.1.10"
    assert runner.calls == []


@pytest.mark.parametrize("address", ["0.0.0.0", "255.255.255.255", "10.0.0.1", "192.168.001.010", "1.22.255.9"])
def test_valid_addresses_are_returned_unchanged(address):
    assert parse_ip_argument(f"IP_ADDRESS={address}") == address


@pytest.mark.parametrize("argument", [
    "IP_ADDRESS=999.1.1.1",
    "IP_ADDRESS=10.0.0.256",
    "IP_ADDRESS=10.0.0",
    "IP_ADDRESS=10.0.0.1.5",
    "IP_ADDRESS=10.0.0.1 ",
    "IP_ADDRESS=10.0.0.1\n",
    "IP_ADDRESS=",
    "IP=10.0.0.1",
    "10.0.0.1",
    "ip_address=10.0.0.1",
])
def test_malformed_argument_is_rejected(argument):
    with pytest.raises(InvalidArgument):
        parse_ip_argument(argument)


def test_more_than_one_argument_is_rejected():
    runner = FakeRunner(outputs={"ip": IP_ADDR_OUTPUT})
    with pytest.raises(InvalidArgument):
        resolve_advertise_address(["IP_ADDRESS=10.0.0.1", "IP_ADDRESS=10.0.0.2"], runner)
    assert runner.calls == []


def test_detects_first_non_loopback_address():
    runner = FakeRunner(outputs={"ip -4 -o addr show": IP_ADDR_OUTPUT})
    assert resolve_advertise_address([], runner) == "10.0.2.15"
    assert runner.commands == ["ip -4 -o addr show"]


def test_no_arguments_same_as_none():
    runner = FakeRunner(outputs={"ip": IP_ADDR_OUTPUT})
    assert resolve_advertise_address(None, runner) == "10.0.2.15"


def test_loopback_only_host_has_no_address():
    output = (
        "1: lo    inet 127.0.0.1/8 scope host lo\n"
        "1: lo    inet 127.0.1.1/8 scope host secondary lo\n"
    )
    with pytest.raises(NoAddressFound):
        resolve_advertise_address([], FakeRunner(outputs={"ip": output}))


def test_host_without_ipv4_has_no_address():
    with pytest.raises(NoAddressFound):
        resolve_advertise_address([], FakeRunner(outputs={"ip": ""}))


def test_interface_order_is_preserved():
    assert parse_interface_addresses(IP_ADDR_OUTPUT) == ["127.0.0.1", "10.0.2.15", "192.168.56.10"]
    assert first_non_loopback(["127.0.0.1", "192.168.56.10", "10.0.2.15"]) == "192.168.56.10"
    assert first_non_loopback([]) is None


def test_single_interface_address():
    output = "2: ens18    inet 172.16.4.20/22 brd 172.16.7.255 scope global ens18\n"
    assert resolve_advertise_address([], FakeRunner(outputs={"ip": output})) == "172.16.4.20"
