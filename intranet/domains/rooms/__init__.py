"""Static room catalog."""
