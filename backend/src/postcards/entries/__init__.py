"""Admin review endpoints"""
