"""Serialization helpers for orders, executions and order books."""