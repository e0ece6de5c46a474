"""HTTP middleware for the RepriseVal API."""
