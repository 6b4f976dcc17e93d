"""Registry operations: manifests and blobs."""
