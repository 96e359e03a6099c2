"""
Indian Rummy.

Turn-based Indian Rummy rule engine backed by a shared Supabase document store.
"""
