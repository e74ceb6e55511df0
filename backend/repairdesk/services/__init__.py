"""Pure business logic used by the API."""
