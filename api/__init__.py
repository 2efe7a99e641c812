"""Exam content API package."""
