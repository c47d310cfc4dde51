"""Service interfaces for network-connected embedded devices, in blocking and asyncio forms, with adapters between them."""

__version__ = "0.1.0"