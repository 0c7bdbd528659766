"""iNaturalist taxa: lookup, caching and group-name classification."""
