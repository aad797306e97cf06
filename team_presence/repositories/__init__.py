"""Repository interfaces and implementations.

This package defines abstract repository interfaces for the domain entities and
the SQL implementations under :mod:`team_presence.repositories.sql`, which run
on any :class:`~team_presence.db.database.Database` backend.
"""
