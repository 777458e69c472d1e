"""Application services layer.

Services build domain objects from AppConfig and wire in the concrete
infrastructure clients. They should avoid UI concerns.
"""
