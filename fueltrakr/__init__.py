"""FuelTrakr: fuel purchase tracking for dealership porters and admins."""

__version__ = "1.0.0"
