"""
Versioned, hand-authored reference tables.

Changing a threshold or adding a sector is an edit here, not in the engine.
"""
