"""Public submission endpoint and workflow"""
