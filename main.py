#!/usr/bin/env python3
"""
spibirds-metadata command line entry point
Usage: python main.py convert | merge <result.yaml> | add-party <eml.xml> --to creator
"""

from spibirds_metadata.main import main

if __name__ == "__main__":
    main()
