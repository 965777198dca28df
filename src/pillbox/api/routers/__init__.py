"""HTTP routers for the schedule API."""
