"""Mirror Play progression and rewards API."""
