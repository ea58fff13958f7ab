"""Recovery of structured cataloging suggestions from unstructured AI text.

Every function in this package is total: absence of a match yields ``""``,
``[]`` or ``None`` and malformed input never raises.
"""
