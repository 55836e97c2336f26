# path: src/runtime/__init__.py

"""
Runtime wiring package.

Holds the entrypoint that stitches the control loop, the reasoning
service, monitoring and configuration together.

Usage:
    python -m runtime.agent_runtime_main --offline --ticks 10
"""
