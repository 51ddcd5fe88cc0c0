"""Code generators for analyzed PLC programs."""
