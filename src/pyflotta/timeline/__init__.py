"""Timeline layer.

Builds driver- and vehicle-centric timelines from the normalized source
collections and reconstructs coupling changes along them.
"""

__all__: list[str] = []
