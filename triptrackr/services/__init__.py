"""Domain services composing the provider wrappers in tools/"""
