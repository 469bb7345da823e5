"""
Meal Planner - Household meal generation service.

Users describe households as groups, attach them to weekly plans and
trigger a background job that asks a generative model for meal options.

Packages:
- jobs: Job record store (Supabase and in-memory backends)
- generation: Submission, execution and status queries
- client: Polling controller that follows a job to a terminal state
- web: FastAPI application
"""

__version__ = "1.0.0"
