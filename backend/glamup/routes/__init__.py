"""HTTP routers for GlamUp."""
