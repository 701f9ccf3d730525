"""landscape.rules — configuration interpretation and simplification rules."""
