"""Infrastructure layer: observer bus, factories and builder"""
