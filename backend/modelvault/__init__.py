"""Local vault for 3D-printable model files."""

__version__ = "1.0.0"
