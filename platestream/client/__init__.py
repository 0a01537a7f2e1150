"""Client side of the streaming protocol."""
