#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tool handlers, registry and error taxonomy for keel."""
