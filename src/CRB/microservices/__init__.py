"""HTTP microservices."""
