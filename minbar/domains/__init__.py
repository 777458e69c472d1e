"""Domain layer (listener state machine, schedule, social commands, sebha).

Domain modules should not depend on UI. Remote services are injected through
the interfaces in domains/live/interfaces.py or passed-in clients.
"""
