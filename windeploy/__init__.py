"""windeploy - remote silent Anaconda/Miniconda installs on Windows hosts."""

__version__ = "1.0.0"
