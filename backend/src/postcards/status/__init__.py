"""Public status lookup"""
