"""Deterministic expansion engine.

An Observe spec expands into five Helm releases, the Grafana instance with
its three datasources, and the Usage edges that order their deletion.
"""
