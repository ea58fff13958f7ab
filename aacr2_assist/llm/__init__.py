"""AI assistance: request payloads, prompt construction and reply post-processing."""
