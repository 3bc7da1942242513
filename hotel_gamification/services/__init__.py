"""Service layer: read-side queries and dependency wiring"""
