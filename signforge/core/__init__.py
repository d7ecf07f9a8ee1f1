"""Deployment core: hashing, building, storage, signing, publishing, dispatch."""
