"""Study catalogs: designs, types and phases."""
