"""Core domain - permission evaluation and the protocols it depends on."""
