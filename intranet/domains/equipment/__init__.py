"""Equipment requests raised to the TI team."""
