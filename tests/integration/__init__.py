"""
mongo-cdc-harness Integration Tests

These tests start a real single node MongoDB replica set in Docker and run
the fixture helpers against it. They are skipped when no Docker daemon is
reachable.

Port: 27150 (to avoid conflicts with local MongoDB)
"""
