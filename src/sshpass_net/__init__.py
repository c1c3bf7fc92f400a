"""Pass a password or key to ssh non-interactively and run one remote command."""
