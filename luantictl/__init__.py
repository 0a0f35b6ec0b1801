"""
Idempotent deployment of a Luanti game server in Docker.

Layers, lowest first:

- `luantictl.plumbing`: single actions against volumes, files, the game bundle and the container
- `luantictl.tasks`: complete operations composed from plumbing
- `luantictl.scripts`: command line entrypoints
"""
