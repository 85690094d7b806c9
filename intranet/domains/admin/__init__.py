"""Administrative overview of portal usage."""
