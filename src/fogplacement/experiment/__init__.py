# -*- coding: utf-8 -*-
"""Batch experiments comparing the placement algorithms."""
