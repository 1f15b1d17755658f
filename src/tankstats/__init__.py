""" tankstats: tank level, flow rate and production tracking for hauled wells """
