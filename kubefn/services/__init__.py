"""Deployment services: manifest generation, submission, rollout polling, ingress."""
