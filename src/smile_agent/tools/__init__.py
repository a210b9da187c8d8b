"""Operation handling and run-log helpers used by the engine."""
