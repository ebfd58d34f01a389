"""Supabase persistence layer."""
