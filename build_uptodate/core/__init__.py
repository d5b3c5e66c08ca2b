"""
Core — models, engine, config, persistence and use cases.
"""
