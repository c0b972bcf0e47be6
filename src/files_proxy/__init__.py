"""HTTP file proxy backed by a local directory and an S3 bucket."""
