"""Application services and their dependency-injection container."""
