"""GrievAI -- grievance classification service with resilient fallbacks."""

__version__ = "0.1.0"
