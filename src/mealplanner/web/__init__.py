"""
Meal Planner - Web API.
"""
