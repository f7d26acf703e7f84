"""Sessions, identity gate and role checks"""
