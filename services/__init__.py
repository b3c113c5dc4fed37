"""Collaborators used by the pipeline and the API: persistence, email transport, rule jobs."""
