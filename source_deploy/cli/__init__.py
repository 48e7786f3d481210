"""Command line interface for source-deploy"""
