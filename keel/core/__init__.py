#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Session, gating and execution core for keel."""
