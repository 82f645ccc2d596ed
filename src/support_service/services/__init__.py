"""Application services: the commands and queries behind the routes and tasks."""
