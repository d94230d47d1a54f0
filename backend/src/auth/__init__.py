"""Bearer-token identity and role checks"""
