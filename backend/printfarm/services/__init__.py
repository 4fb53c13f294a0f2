"""Business services: workflow engine, order entry and reference-data admin."""
