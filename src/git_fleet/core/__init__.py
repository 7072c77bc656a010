"""Process execution, status probing and batch coordination."""
