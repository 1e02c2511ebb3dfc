"""
ReelForge backend - short-form video generation pipeline.
"""
