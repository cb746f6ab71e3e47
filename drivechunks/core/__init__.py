"""Core modules: Drive API access, transfer engine and local catalog."""
