"""Hours Calc CLI."""
