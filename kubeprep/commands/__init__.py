from . import master, tools, worker

__all__ = ['master', 'tools', 'worker']
