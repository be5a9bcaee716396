"""Optical clinic appointments and reporting service."""
