"""WebSocket feeds for executions and order book snapshots."""