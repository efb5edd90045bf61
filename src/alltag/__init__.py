"""Alltag - a personal task tracker that recommends what to do next."""
