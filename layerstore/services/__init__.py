"""Application services: settings cache, persistence worker, applications, process logs."""
