"""Test package for the lens_lyric captioning client."""
