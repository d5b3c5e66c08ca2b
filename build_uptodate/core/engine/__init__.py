"""
Engine — timestamp resolution, staleness checks, unit analysis, graph walk.
"""
