"""User-facing interfaces built on top of :mod:`flaresmith.api`."""
