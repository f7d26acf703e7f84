"""Domain layer: lifecycle rules, error taxonomy and collaborator ports"""
