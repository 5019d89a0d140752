# Lexis - hard vocabulary finder for long-form prose

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("lexis")
except PackageNotFoundError:
    __version__ = "dev"
