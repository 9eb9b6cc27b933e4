"""Server core: settings, constants and database wiring."""
