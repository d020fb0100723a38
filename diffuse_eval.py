#!/usr/bin/env python
"""CLI entry point for volumetric diffuse evaluation."""

from volumetric_diffuse.pipeline import main

if __name__ == "__main__":
    main()
