"""Local plane estimation and plane graphs for unorganized point clouds."""
