"""
cpunk - Cypherpunk remailer command-line client
"""
