"""HTTP client for the FuelTrakr backend API."""
