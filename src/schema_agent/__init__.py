"""Hibernate mapping fragment merger, SQL script generator and table documentation."""

__version__ = "0.3.0"
