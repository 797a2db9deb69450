"""Domain layer: records, pricing strategies, filtering and review aggregation"""
