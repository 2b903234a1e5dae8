"""Application layer: allocation and ticketing coordinator"""
