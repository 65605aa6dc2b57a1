"""Locust load script for the movie relay.
Usage:
  locust -f perf/locustfile.py --host http://localhost:8000
  RELAY_MOVIE_IDS="41235,9001" RELAY_QUERIES="dune,matrix" locust -f perf/locustfile.py --host ...
"""
import os
import random
from locust import HttpUser, task, between

MOVIE_IDS = [int(x) for x in os.getenv("RELAY_MOVIE_IDS", "41235").split(",") if x.strip()]
QUERIES = [x.strip() for x in os.getenv("RELAY_QUERIES", "dune,matrix,love").split(",") if x.strip()]
CATEGORY_IDS = [8, 9, 10]


class RelayUser(HttpUser):
    wait_time = between(0.2, 1.0)

    @task(3)
    def hot(self):
        self.client.get("/api/movies/hot")

    @task(1)
    def categories(self):
        self.client.get("/api/categories")

    @task(3)
    def category_page(self):
        category_id = random.choice(CATEGORY_IDS)
        page = random.randint(1, 3)
        self.client.get(f"/api/movies/category/{category_id}?page={page}", name="/api/movies/category/[id]")

    @task(2)
    def detail(self):
        movie_id = random.choice(MOVIE_IDS)
        self.client.get(f"/api/movie/{movie_id}", name="/api/movie/[id]")

    @task(2)
    def search(self):
        # not cached, every call reaches the upstream
        self.client.get("/api/search", params={"q": random.choice(QUERIES)}, name="/api/search")

    @task(1)
    def play(self):
        movie_id = random.choice(MOVIE_IDS)
        self.client.get(f"/api/movie/{movie_id}/play?episode=0", name="/api/movie/[id]/play")
