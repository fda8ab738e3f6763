"""Services Package"""
