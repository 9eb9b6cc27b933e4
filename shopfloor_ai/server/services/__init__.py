"""Service layer between the HTTP API and the agent core."""
