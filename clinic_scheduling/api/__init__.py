"""HTTP shell for the scheduling core."""
