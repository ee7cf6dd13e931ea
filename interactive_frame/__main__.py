#!/usr/bin/env python3

from .app import main

main()
