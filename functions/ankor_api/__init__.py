"""
HTTP API package for ANKOR.

This package provides a FastAPI application that fronts a Supabase project
(Postgres via PostgREST, Auth and Storage) for organizations, teams, athletes,
skills, join codes and scorecard templates.
"""
