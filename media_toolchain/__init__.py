"""Media Toolchain — plugin provisioning for the media manager."""

__version__ = "0.1.0"
