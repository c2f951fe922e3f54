"""nlcodec - Netlink attribute and struct codec generator."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("nlcodec")
except PackageNotFoundError:
    __version__ = "(local)"
