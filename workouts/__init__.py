"""
Workout import package.

The package is organized into:
- routes/: API endpoint handlers (``workouts.routes.router``)
- services/: import pipeline, duplicate detection and admission control
- events.py: progress reporting sinks
- store.py: local persistence used by the pipeline
"""
