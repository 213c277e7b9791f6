from . import assets, catalog, jobs, subjects, tasks, usage

__all__ = ["assets", "catalog", "jobs", "subjects", "tasks", "usage"]
