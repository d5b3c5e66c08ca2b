"""
Configuration — unit manifests and run settings.
"""
