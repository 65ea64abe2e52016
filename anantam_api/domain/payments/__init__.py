"""Payments domain - Razorpay orders and checkout signature verification"""
