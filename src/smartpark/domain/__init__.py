"""Domain layer: value objects, entities, registry and strategies"""
