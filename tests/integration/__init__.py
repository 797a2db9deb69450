"""Integration tests: services wired together through AccountSession and the CLI"""
