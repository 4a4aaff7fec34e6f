"""CLI sub-command groups registered by xsetup.main."""
