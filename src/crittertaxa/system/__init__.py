"""System integration: filesystem layout and logging setup."""
