# barbershop/data.py

# Seeded on first start; the catalogue is read-only through the API
DEFAULT_SERVICES = [
    {"name": "Classic cut", "price": 25.00, "duration_minutes": 30, "description": "Traditional men's haircut"},
    {"name": "Cut and beard", "price": 40.00, "duration_minutes": 45, "description": "Haircut plus beard shaping"},
    {"name": "Beard trim", "price": 20.00, "duration_minutes": 20, "description": "Beard shaping and trim"},
    {"name": "Fade", "price": 30.00, "duration_minutes": 35, "description": "Modern skin or low fade"},
    {"name": "Scissors cut", "price": 35.00, "duration_minutes": 40, "description": "Longer styled scissors cut"},
]
