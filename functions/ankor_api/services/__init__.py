"""
Service layer: each module forwards validated input to Supabase and maps rows
back to response shapes.
"""
