"""Hours Calc - hours registration and payment distribution calculator."""

__version__ = "0.3.0"
