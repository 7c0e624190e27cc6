from housecup.routes import awards, crossword, guests, houses, voting

routers = [
    houses.router,
    guests.router,
    awards.router,
    voting.router,
    crossword.router,
]
