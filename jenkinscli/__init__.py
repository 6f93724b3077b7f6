"""Client library for the Jenkins REST API: jobs, multibranch pipelines and views."""

__version__ = "0.1.0"

__all__ = ["client", "errors", "jobs"]