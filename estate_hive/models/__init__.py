"""Pydantic models"""
