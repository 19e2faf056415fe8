"""wirepack - Schema-compiled binary packet codecs."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wirepack")
except PackageNotFoundError:
    __version__ = "(local)"
