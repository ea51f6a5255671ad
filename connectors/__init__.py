"""ERP Connectors.

Upstream API adapters for the systems the mirror reads from. Adapters only
fetch raw records; normalization happens in `mirror.transforms`.
"""
