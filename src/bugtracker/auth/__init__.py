"""Authentication and authorization.

Learn: Three layers, each usable on its own:
1. jwt.py / password.py → token and password primitives
2. dependencies.py → the authentication gate (token → CurrentIdentity)
3. policy.py → pure allow/deny decisions on (identity, action, resource)

Routes combine them: the gate runs as a dependency, the policy is
consulted with a snapshot of the entity the route just loaded.
"""
