"""Video transcript Q&A pipeline.

This package fetches a video's transcript, splits it into overlapping chunks,
stores their embeddings in a vector index, and answers questions about the
video from the passages nearest to each question.
"""
