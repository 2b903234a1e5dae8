"""Presentation layer: console front end"""
