"""hostroute: host-level routing configurator CLI."""
