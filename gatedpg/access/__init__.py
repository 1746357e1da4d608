"""GitHub-identity access control for the database tools.

- policy: immutable AccessPolicy / Identity, loaded from env vars + optional YAML
- github: membership lookups returning tagged results
- decider: allow-list first, then organization membership
- tool_guard: which tools need a granted decision
"""
