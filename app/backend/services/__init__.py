"""Domain services: prediction queries, S3 storage and S3 sync"""
