"""
Workshop Exercises Example
==========================

Copies a workshop exercise into the working directory.
"""

import dsw

print("Available exercises:", ", ".join(dsw.list_exercises()))

# Saves faux-stub.md here and opens it
path = dsw.exercise("faux")
print(f"Saved {path}")

# Save under a different name without opening a viewer
path = dsw.exercise("fixed", "fixed-exercise.md", open_file=False)
print(f"Saved {path}")
