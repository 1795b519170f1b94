# -*- coding: utf-8 -*-
"""
Ledger REST API - FastAPI router for GHG, audit and certificate endpoints.
"""
