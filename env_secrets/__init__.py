"""Pull secrets from AWS Secrets Manager into a process environment."""
