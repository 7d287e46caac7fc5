"""Conversation memory: context stack, behaviour patterns, manager"""
