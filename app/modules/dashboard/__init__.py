"""Dashboard module - per-role statistics"""
