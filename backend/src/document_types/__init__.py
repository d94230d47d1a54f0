"""Company document type settings: catalogue CRUD and field schemas"""
