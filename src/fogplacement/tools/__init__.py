# -*- coding: utf-8 -*-
"""Topology and experiment-data generators."""
