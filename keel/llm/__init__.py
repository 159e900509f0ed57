#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Helpers for reading tool calls out of model output."""
