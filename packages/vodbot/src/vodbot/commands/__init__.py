"""Top-level drivers behind the ``vodbot`` sub-commands."""
