from codefuse.cli import entrypoint

entrypoint()
