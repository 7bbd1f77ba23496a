"""WorldDAO vote service packages."""
