"""Infrastructure layer: catalog, snapshot stores, event bus and factories"""
